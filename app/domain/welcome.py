# app/domain/welcome.py
"""
System-authored welcome message posted once into every new group chat.
"""
from pathlib import Path
from typing import List, Sequence

from mako.lookup import TemplateLookup

from app.domain.models import CandidateProfile

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = TemplateLookup(
    directories=[str(TEMPLATE_DIR)],
    input_encoding="utf-8",
    strict_undefined=True,
)

CONVERSATION_STARTERS = [
    "What's the most interesting case you've seen this week?",
    "Any exciting conferences or learning opportunities coming up?",
    "What do you like to do to unwind after long shifts?",
]


def unique_specialties(members: Sequence[CandidateProfile]) -> List[str]:
    """Specialties represented in the group, first-seen order, no blanks."""
    seen: List[str] = []
    for m in members:
        if m.specialty and m.specialty not in seen:
            seen.append(m.specialty)
    return seen


def build_welcome_message(members: Sequence[CandidateProfile]) -> str:
    names = ", ".join(m.first_name or m.id for m in members)
    template = templates.get_template("welcome_message.mako")
    return template.render(
        names=names,
        specialties=", ".join(unique_specialties(members)),
        starters=CONVERSATION_STARTERS,
    ).strip()
