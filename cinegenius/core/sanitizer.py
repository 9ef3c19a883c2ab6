import re
from typing import Dict, List


def sanitize_shot_description(description: str, characters: List[str]) -> str:
    """
    Rewrites a shot description so it is less likely to trip image safety filters.

    Every case-insensitive occurrence of a scene character's name becomes
    ``Person N``, where N is that character's 1-based position in the scene's
    character list. Double quotes are removed afterwards.
    """
    placeholders: Dict[str, str] = {}
    for index, name in enumerate(characters, start=1):
        key = name.strip().lower()
        if key and key not in placeholders:
            placeholders[key] = f"Person {index}"

    clean = description
    if placeholders:
        # Longest names first so "Anna" is not consumed as "Ann" + "a"
        names = sorted(placeholders, key=len, reverse=True)
        pattern = re.compile("|".join(f"({re.escape(n)})" for n in names), re.IGNORECASE)
        clean = pattern.sub(lambda m: placeholders[names[m.lastindex - 1]], clean)

    return clean.replace('"', "")
