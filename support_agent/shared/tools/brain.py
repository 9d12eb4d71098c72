"""
Brain Assets

Read-only prompt material mounted at ``brain_path``:

    SOUL.md                          persona shared by every prompt
    skills/support-triage/SKILL.md   classifier instructions (required)
    skills/reply-generator/SKILL.md  reply instructions
    knowledge-base/*.md              policy documents quoted in replies
    tenant.json                      store configuration (optional)
"""

import re
from pathlib import Path

import structlog

from support_agent.shared.exceptions import BrainAssetError

log = structlog.get_logger()

TRIAGE_SKILL = Path("skills") / "support-triage" / "SKILL.md"
REPLY_SKILL = Path("skills") / "reply-generator" / "SKILL.md"
SOUL_FILE = Path("SOUL.md")
KNOWLEDGE_BASE_DIR = "knowledge-base"
EMAIL_FOOTER_FILE = "custom-email-footer.md"

SAFE_KB_FILENAME = re.compile(r"^[A-Za-z0-9_.-]+\.md$")

NO_KB_FILES_REQUESTED = "(No specific KB files requested; use general FAQ and brand-voice.)"
NO_KB_CONTENT_LOADED = "(No KB content loaded.)"


class Brain:
    """Accessor for files under the brain directory."""

    def __init__(self, root: Path):
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def knowledge_base_root(self) -> Path:
        return self._root / KNOWLEDGE_BASE_DIR

    def has_triage_skill(self) -> bool:
        return (self._root / TRIAGE_SKILL).is_file()

    def read_optional(self, relative: Path | str) -> str:
        """Read a brain file, returning "" when it is missing or unreadable."""
        path = self._root / relative
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            log.warning("brain_file_unreadable", path=str(path), error=str(e))
            return ""

    def read_required(self, relative: Path | str) -> str:
        """
        Read a brain file that must exist.

        Raises:
            BrainAssetError: If the file is missing or unreadable
        """
        path = self._root / relative
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            log.error("brain_file_missing", path=str(path), error=str(e))
            raise BrainAssetError(str(path)) from e

    def system_prompt(self, skill: Path) -> str:
        """
        SOUL.md followed by the given skill file.

        Raises:
            BrainAssetError: If the skill file is missing
        """
        skill_content = self.read_required(skill)
        soul = self.read_optional(SOUL_FILE)
        return f"{soul}\n\n---\n\n{skill_content}"

    def read_knowledge_base(self, target_files: list[str]) -> str:
        """
        Concatenate the requested knowledge-base documents.

        Only plain ``*.md`` names directly under knowledge-base/ are read;
        anything else is skipped with a warning.
        """
        if not target_files:
            return NO_KB_FILES_REQUESTED

        kb_root = self.knowledge_base_root.resolve()
        parts: list[str] = []
        for name in target_files:
            if not SAFE_KB_FILENAME.match(name):
                log.warning("kb_unsafe_filename_skipped", file=name)
                continue

            path = (kb_root / name).resolve()
            if not path.is_relative_to(kb_root):
                log.warning("kb_path_traversal_blocked", file=name)
                continue

            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                log.warning("kb_file_unreadable", path=str(path), error=str(e))
                continue
            parts.append(f"## {name}\n\n{content}")

        return "\n\n---\n\n".join(parts) if parts else NO_KB_CONTENT_LOADED

    def email_footer(self) -> str:
        """Plain-text footer appended to outgoing replies ("" when absent)."""
        path = self.knowledge_base_root / EMAIL_FOOTER_FILE
        if not path.is_file():
            return ""
        content = self.read_optional(Path(KNOWLEDGE_BASE_DIR) / EMAIL_FOOTER_FILE).strip()
        # An HTML comment is the placeholder shipped with a fresh brain
        if not content or content.startswith("<!--"):
            return ""
        return content
