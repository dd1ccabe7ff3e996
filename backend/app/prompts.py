REGIONS = ("shoulders", "arms", "chest", "back", "core", "legs")
MUSCLE_GROUPS = ("Shoulders", "Arms", "Chest", "Core", "Back", "Legs")
ANALYSIS_KEYS = REGIONS + ("overall",)

_ANALYSIS_SKELETON = (
    '{"shoulders": "...", "arms": "...", "chest": "...", "back": "...", '
    '"core": "...", "legs": "...", "overall": "..."}'
)

_COMPARISON_SKELETON = (
    "{\n"
    '  "muscles": [\n'
    + ",\n".join(
        f'    {{"name": "{group}", "winner": "before|after|same", "observation": "..."}}'
        for group in MUSCLE_GROUPS
    )
    + "\n  ],\n"
    '  "overallSummary": "...",\n'
    '  "recommendations": [{"text": "...", "priority": "high|medium|low"}],\n'
    '  "focusAreas": ["Shoulders"]\n'
    "}"
)

ANALYSIS_PROMPT = (
    "You are a fitness coach reviewing a physique progress photo. "
    "For each body region (shoulders, arms, chest, back, core, legs) write exactly one sentence "
    "describing what you observe about muscle development and definition, then write one sentence "
    "for the overall impression. "
    "Return only a flat JSON object with exactly these seven keys and string values, no additional text:\n"
    f"{_ANALYSIS_SKELETON}"
)

PROGRESS_PROMPT = (
    "You are a fitness coach comparing two physique progress photos of the same person. "
    "The first image is the previous photo and the second image is the current photo. "
    "For each body region (shoulders, arms, chest, back, core, legs) write exactly one sentence "
    "describing the visible change from the previous photo to the current one, then write one sentence "
    "for the overall progress. "
    "Return only a flat JSON object with exactly these seven keys and string values, no additional text:\n"
    f"{_ANALYSIS_SKELETON}"
)

COMPARISON_PROMPT = (
    "You are a fitness coach comparing a BEFORE photo (first image) with an AFTER photo (second image) "
    "of the same person. "
    "For each muscle group (Shoulders, Arms, Chest, Core, Back, Legs) decide which photo shows the better "
    'development and set "winner" to "before", "after" or "same", and add a one-sentence "observation". '
    'Then write an "overallSummary" of two to three sentences, a list of "recommendations" where each item '
    'has a "text" and a "priority" of "high", "medium" or "low", and a list of "focusAreas" naming the '
    "muscle groups that need the most work. "
    "Return only JSON in exactly this structure, no additional text:\n"
    f"{_COMPARISON_SKELETON}"
)

BODY_FAT_CLAUSE = (
    "At least one photo is front-facing: include an estimated body fat percentage range for each photo "
    '(for example "15-18%") inside the "overallSummary" text. Do not add extra keys for it.'
)

DESCRIBE_PROMPT = "Describe this photo and tell me what you like and dislike."

PROMPTS = {
    "analysis": ANALYSIS_PROMPT,
    "progress": PROGRESS_PROMPT,
    "comparison": COMPARISON_PROMPT,
    "describe": DESCRIBE_PROMPT,
}


def get_prompt(kind: str) -> str:
    return PROMPTS[kind]


def build_analysis_prompt(has_previous: bool) -> str:
    return get_prompt("progress" if has_previous else "analysis")


def has_front_pose(*poses) -> bool:
    return any(pose == "front" for pose in poses)


def build_comparison_prompt(before_pose=None, after_pose=None) -> str:
    prompt = get_prompt("comparison")
    if has_front_pose(before_pose, after_pose):
        prompt = f"{prompt}\n{BODY_FAT_CLAUSE}"
    return prompt
