"""Skills catalog: a fixed built-in list plus custom skills from disk."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, ValidationError

from pai.storage import read_text

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class Skill(BaseModel):
    id: str
    name: str
    description: str
    category: str


BUILTIN_SKILLS: tuple[Skill, ...] = (
    Skill(id="agents", name="Agents", description="Dynamic agent composition and management system", category="core"),
    Skill(id="research", name="Research", description="Comprehensive research, analysis and content extraction", category="core"),
    Skill(id="telos", name="Telos", description="Life OS and project analysis framework", category="core"),
    Skill(id="redteam", name="RedTeam", description="Security assessment and red team operations", category="security"),
    Skill(id="recon", name="Recon", description="Information gathering and reconnaissance", category="security"),
    Skill(id="osint", name="OSINT", description="Open source intelligence", category="security"),
    Skill(id="browser", name="Browser", description="Browser automation and control", category="tools"),
    Skill(id="art", name="Art", description="Art generation and creative tools", category="creative"),
    Skill(id="documents", name="Documents", description="Document processing (PDF, Docx, Xlsx, Pptx)", category="tools"),
    Skill(id="apify", name="Apify", description="Web scraping and automation", category="tools"),
    Skill(id="prompting", name="Prompting", description="Prompt engineering and optimization", category="ai"),
    Skill(id="fabric", name="Fabric", description="AI patterns library (242+ patterns)", category="ai"),
    Skill(id="evals", name="Evals", description="Evaluation and testing framework", category="ai"),
    Skill(id="council", name="Council", description="Multi-agent decision committee", category="ai"),
    Skill(id="firstprinciples", name="First Principles", description="First principles thinking and analysis", category="ai"),
    Skill(id="becreative", name="BeCreative", description="Creative brainstorming and ideation", category="creative"),
    Skill(id="paiupgrade", name="PAI Upgrade", description="Auto upgrade system for PAI", category="system"),
    Skill(id="createskill", name="CreateSkill", description="Tool for creating custom skills", category="tools"),
    Skill(id="createcli", name="CreateCLI", description="Tool for creating CLI applications", category="tools"),
    Skill(id="extractwisdom", name="Extract Wisdom", description="Extract insights and wisdom from content", category="ai"),
)


def load_custom_skills(directory: Path) -> list[Skill]:
    """Read ``*.json`` skill definitions from *directory*, skipping bad files."""
    if not directory.is_dir():
        return []
    skills = []
    for path in sorted(directory.glob("*.json")):
        text = read_text(path)
        if text is None:
            continue
        try:
            skills.append(Skill.model_validate_json(text))
        except ValidationError:
            logger.warning("Skipping invalid skill file %s", path)
    return skills


def get_skills(custom_dir: Path | None = None) -> list[Skill]:
    """Built-in skills, with custom skills replacing same-id entries or appended."""
    skills = {s.id: s for s in BUILTIN_SKILLS}
    if custom_dir is not None:
        for skill in load_custom_skills(custom_dir):
            skills[skill.id] = skill
    return list(skills.values())
