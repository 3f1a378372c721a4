"""
Program name taxonomy.

Raw program names come straight out of the PDFs ("REC/FAMILY SWIM",
"Sr. Lap Swim", "MAIN POOL CLOSED - STAFF TRAINING", ...). They are mapped to a
fixed list of canonical categories used for filtering, or title-cased for
display when no rule matches.
"""

import re

CONNECTORS = {"and", "or", "of", "the", "a", "an", "to", "for", "in", "on", "at", "by"}

# words that should remain fully uppercase
ACRONYMS = ["SF", "USA", "USMS", "YMCA", "LGBTQ+", "JCC"]

SEPARATOR_SPLIT = re.compile(r"(\s+|/|&|-)")
SEPARATOR = re.compile(r"^(\s+|/|&|-+)$")

CLOSURE = "Pool Closure / Staff & Departmental Use"
SPECIAL_OLYMPICS = "Special Olympics"
HIGH_SCHOOL = "High School Swim Programs"
MASTERS = "Masters Swim Program"
SENIOR_THERAPY = "Senior Swim / Therapy Swim"
LAP_SWIM = "Lap Swim"
FAMILY_SWIM = "Family Swim"
WATER_EXERCISE = "Water Exercise"
ADULT_SYNCHRO = "Adult Synchronized Swimming"
YOUTH_SYNCHRO = "Youth Synchronized Swimming"
ADULT_WATER_POLO = "Adult Water Polo"
YOUTH_TEAMS = "Youth Swim Teams / Club Teams"
ADULT_LESSONS = "Adult Swim Lessons"
GENERAL_LESSONS = "Swim Lessons (General/Youth/Community)"
PARENT_CHILD = "Parent & Child Swim"

CANONICAL_CATEGORIES = [
    ADULT_LESSONS,
    ADULT_SYNCHRO,
    ADULT_WATER_POLO,
    FAMILY_SWIM,
    HIGH_SCHOOL,
    LAP_SWIM,
    MASTERS,
    PARENT_CHILD,
    GENERAL_LESSONS,
    SENIOR_THERAPY,
    WATER_EXERCISE,
    YOUTH_TEAMS,
    YOUTH_SYNCHRO,
    CLOSURE,
    SPECIAL_OLYMPICS,
]

CLOSURE_PATTERN = re.compile(r"(closure|closed|maintenance|staff|training|department|dept|private|permit|reserved)")
HIGH_SCHOOL_PATTERN = re.compile(r"\bhs\b")

SENIOR_KEYWORDS = [
    "senior",
    "therapy",
    "therapeutic",
    "self guided",
    "self-guided",
    "selfguided",
    "self guide",
    # misspelling that shows up in the Coffman schedule
    "execise",
]


def _capitalize_word(word):
    if not word:
        return word
    lower = word.lower()
    for acronym in ACRONYMS:
        if lower == acronym.lower():
            return acronym
    if len(word) == 1:
        return word.upper()
    return lower[0].upper() + lower[1:]


def to_title_case(text):
    """
    Title-case a raw name for display.

    Separators (whitespace, "/", "&", "-") are kept as they are, tokens that
    contain digits keep their casing ("12U"), connectors are lowercased unless
    they start or end the name, and known acronyms stay uppercase.
    """
    if not text:
        return ""
    parts = SEPARATOR_SPLIT.split(text.strip())
    word_indexes = [i for i, part in enumerate(parts) if part and not SEPARATOR.match(part)]
    if not word_indexes:
        return text.strip()
    first_word, last_word = word_indexes[0], word_indexes[-1]

    result = []
    for i, token in enumerate(parts):
        if not token or SEPARATOR.match(token):
            result.append(token)
            continue
        lower = token.lower()
        if re.search(r"\d", token):
            result.append(token)
        elif i not in (first_word, last_word) and lower in CONNECTORS:
            result.append(lower)
        elif lower in ("jr", "jr."):
            result.append("Jr.")
        elif lower in ("sr", "sr."):
            result.append("Sr.")
        else:
            result.append(_capitalize_word(token))
    return "".join(result)


def find_canonical_program(raw):
    """
    Map a raw program name to one of CANONICAL_CATEGORIES, or None.

    The keyword checks overlap ("Senior Lap Swim", "Pool Closed for Swim Team
    Training"), so they run in a fixed priority order and the first hit wins.
    """
    s = (raw or "").strip().lower()
    if not s:
        return None

    # closures and non-program usage
    if CLOSURE_PATTERN.search(s):
        return CLOSURE

    if "special olympics" in s:
        return SPECIAL_OLYMPICS

    # school district usage
    if "sfusd" in s or "unified school" in s or "school district" in s:
        return HIGH_SCHOOL

    if "high school" in s or HIGH_SCHOOL_PATTERN.search(s) or "prep" in s:
        return HIGH_SCHOOL

    if "masters" in s or "master's" in s:
        return MASTERS

    # must come before lap: "senior lap swim" is a senior program
    if any(keyword in s for keyword in SENIOR_KEYWORDS):
        return SENIOR_THERAPY

    if "lap" in s:
        return LAP_SWIM

    if "family" in s:
        return FAMILY_SWIM

    if "water exercise" in s or "water aerobics" in s or "aqua" in s:
        return WATER_EXERCISE

    if "synchronized" in s or "synchro" in s:
        if "adult" in s:
            return ADULT_SYNCHRO
        if "youth" in s or "junior" in s:
            return YOUTH_SYNCHRO
        return None

    if "water polo" in s:
        if "adult" in s or "masters" in s:
            return ADULT_WATER_POLO
        if "high school" in s or HIGH_SCHOOL_PATTERN.search(s):
            return HIGH_SCHOOL
        if "youth" in s or "club" in s:
            return YOUTH_TEAMS
        return None

    if "lesson" in s:
        if "adult" in s:
            return ADULT_LESSONS
        return GENERAL_LESSONS

    if "learn to swim" in s or "learn - to - swim" in s:
        return GENERAL_LESSONS

    if "preschool" in s or "pre-school" in s or "pre school" in s:
        return GENERAL_LESSONS

    if ("parent" in s and ("child" in s or "tot" in s)) or "parent & child" in s or "parent/child" in s:
        return PARENT_CHILD

    # youth teams
    if "piranhas" in s or ("junior" in s and "swim" in s):
        return YOUTH_TEAMS

    if "team" in s:
        if "high school" in s or HIGH_SCHOOL_PATTERN.search(s):
            return HIGH_SCHOOL
        return YOUTH_TEAMS

    if "rec swim" in s or "recreational swim" in s or "open swim" in s:
        return FAMILY_SWIM

    return None


def normalize_program_name(raw):
    """Canonical category when one matches, otherwise the title-cased raw name."""
    return find_canonical_program(raw) or to_title_case(raw)


def is_canonical(category):
    return category in CANONICAL_CATEGORIES
