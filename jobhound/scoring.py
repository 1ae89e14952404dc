"""
Rule-based posting scorer.

Deterministic and additive: each factor is capped on its own, the sum is
clamped to [0, 100]. All matching is case-insensitive substring matching
over "title + description"; there is no stemming beyond the tables below.

    Skills       0 / 15 / 30 / 40
    Experience   8 / 15 / 30
    Location     15 / 25 / 30   (remote and location take a max)
    Exclusions   -10 per hit
    Bonus        up to 10
"""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from .models import Criteria, Posting

SKILL_VARIANTS: Dict[str, List[str]] = {
    "react": ["reactjs", "react.js"],
    "vue": ["vuejs", "vue.js"],
    "angular": ["angularjs"],
    "node": ["nodejs", "node.js"],
    "typescript": ["ts"],
    "javascript": ["js", "es6", "es2015"],
    "python": ["py"],
    "docker": ["containerization"],
    "kubernetes": ["k8s"],
    "aws": ["amazon web services"],
}

# "3+ years" counts as mid-level; senior starts at "5+ years".
LEVEL_TERMS: Dict[str, List[str]] = {
    "junior": ["junior", "entry", "graduate", "0-2 years", "new grad"],
    "mid": ["mid", "intermediate", "2-5 years", "3-5 years", "3+ years", "experienced"],
    "senior": ["senior", "lead", "5+ years", "7+ years", "expert", "principal"],
}

REMOTE_TERMS = ["remote", "work from home", "wfh", "distributed", "anywhere"]

# (terms, points, label)
BONUS_INDICATORS: List[Tuple[List[str], int, str]] = [
    (["equity", "stock options", "rsu"], 3, "Equity offered"),
    (["unlimited pto", "flexible time off"], 3, "Flexible PTO"),
    (["learning budget", "conference", "training"], 2, "Learning opportunities"),
]

SKILLS_MAX = 40
BONUS_MAX = 10
NEUTRAL = 15
EXCLUSION_PENALTY = 10


@dataclass
class ScoreBreakdown:
    skills: int = 0
    experience: int = 0
    location: int = 0
    exclusions: int = 0
    bonus: int = 0
    reasons: List[str] = field(default_factory=list)

    @property
    def raw(self) -> int:
        return self.skills + self.experience + self.location + self.exclusions + self.bonus

    @property
    def total(self) -> int:
        return int(round(max(0, min(100, self.raw))))


def skill_variants(skill: str) -> List[str]:
    key = skill.lower()
    return [key] + SKILL_VARIANTS.get(key, [])


def score_skills(text: str, core_skills: Sequence[str]) -> Tuple[int, List[str]]:
    if not core_skills:
        return NEUTRAL, ["No specific skills required"]

    matched = [s for s in core_skills if any(v in text for v in skill_variants(s))]
    reasons = [f"Skill: {s}" for s in matched]

    # One match scores the same as two; only three or more reach the cap.
    if len(matched) > 2:
        return SKILLS_MAX, reasons
    if matched:
        return 30, reasons
    return 0, reasons


def resolve_level(label: str) -> str:
    """Map a free-form label ("Mid-level", "Senior") onto a LEVEL_TERMS key."""
    key = label.lower().strip()
    if key in LEVEL_TERMS:
        return key
    for level in LEVEL_TERMS:
        if key.startswith(level):
            return level
    return key


def score_experience(text: str, preferred_level: str) -> Tuple[int, List[str]]:
    if not preferred_level:
        return NEUTRAL, ["No experience preference"]

    target = resolve_level(preferred_level)
    target_terms = LEVEL_TERMS.get(target, [target])

    if any(term in text for term in target_terms):
        return 30, [f"Matches {preferred_level} level"]

    conflict = any(
        term in text
        for level, terms in LEVEL_TERMS.items()
        if level != target
        for term in terms
    )
    if conflict:
        return 8, ["Different experience level detected"]
    return NEUTRAL, []


def wants_remote(preference: str) -> bool:
    pref = preference.lower()
    return "remote" in pref or "hybrid" in pref


def score_location(text: str, criteria: Criteria) -> Tuple[int, List[str]]:
    score = NEUTRAL
    reasons: List[str] = []

    if wants_remote(criteria.remote_preference) and any(t in text for t in REMOTE_TERMS):
        score = 30
        reasons.append("Remote work available")

    if any(loc.lower() in text for loc in criteria.locations):
        score = max(score, 25)
        reasons.append("Preferred location")

    return score, reasons


def score_exclusions(text: str, excluded: Sequence[str]) -> Tuple[int, List[str]]:
    penalty = 0
    reasons = []
    for keyword in excluded:
        if keyword.lower() in text:
            penalty -= EXCLUSION_PENALTY
            reasons.append(f"Contains excluded: {keyword}")
    return penalty, reasons


def score_bonus(text: str) -> Tuple[int, List[str]]:
    bonus = 0
    reasons = []
    for terms, points, label in BONUS_INDICATORS:
        if any(term in text for term in terms):
            bonus += points
            reasons.append(label)
    return min(bonus, BONUS_MAX), reasons


def explain(posting: Posting, criteria: Criteria) -> ScoreBreakdown:
    """Compute every sub-score with the reasons behind it."""
    text = posting.text
    breakdown = ScoreBreakdown()

    for attr, (points, reasons) in (
        ("skills", score_skills(text, criteria.core_skills)),
        ("experience", score_experience(text, criteria.experience_level)),
        ("location", score_location(text, criteria)),
        ("exclusions", score_exclusions(text, criteria.excluded_keywords)),
        ("bonus", score_bonus(text)),
    ):
        setattr(breakdown, attr, points)
        breakdown.reasons.extend(reasons)

    return breakdown


def score(posting: Posting, criteria: Criteria) -> int:
    """Score a posting against criteria. Always an int in [0, 100]."""
    return explain(posting, criteria).total
