from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class RequestBody(BaseModel):
    # Unbekannte Felder werden ignoriert, fehlende Bilder prüft der Service selbst
    model_config = ConfigDict(extra="ignore")


class AnalyzePhotoRequest(RequestBody):
    imageBase64: Optional[str] = None
    mimeType: Optional[str] = None
    previousImageBase64: Optional[str] = None
    previousMimeType: Optional[str] = None


class ComparePhotosRequest(RequestBody):
    beforeBase64: Optional[str] = None
    beforeMime: Optional[str] = None
    afterBase64: Optional[str] = None
    afterMime: Optional[str] = None
    beforePose: Optional[str] = None
    afterPose: Optional[str] = None


class DescribePhotoRequest(RequestBody):
    photoBase64: Optional[str] = None
    photoMime: Optional[str] = None


class MuscleComparison(BaseModel):
    name: str
    winner: str
    observation: str


class Recommendation(BaseModel):
    text: str
    priority: str


class PhotoAnalysis(BaseModel):
    shoulders: str
    arms: str
    chest: str
    back: str
    core: str
    legs: str
    overall: str


class PhotoComparison(BaseModel):
    # Nur für die OpenAPI-Dokumentation; Antworten werden nicht dagegen validiert
    muscles: List[MuscleComparison]
    overallSummary: str
    recommendations: List[Recommendation]
    focusAreas: List[str]
    daysApart: int = 0


class DescribeResult(BaseModel):
    result: str


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str
    service: str
    model: str
