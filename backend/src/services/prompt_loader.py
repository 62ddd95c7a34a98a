"""Jinja2-based prompt template loader for the note assistant.

Built-in prompts are defined inline. A prompts directory (``PROMPTS_DIR``) may
override any of them by providing a file at the same relative path, e.g.
``assistant/answer_system.md``. Templates are reloaded on every call so edits
take effect without a restart.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import jinja2

logger = logging.getLogger(__name__)

INLINE_PROMPTS: Dict[str, str] = {
    "assistant/answer_system.md": (
        "You are a helpful assistant that answers questions based on the user's notes. "
        "Use the provided note context to answer questions accurately."
    ),
    "assistant/answer_user.md": "Context:\n{{ context }}\n\nQuestion: {{ question }}",
    "assistant/tags_system.md": (
        "You are a helpful assistant that generates relevant tags for notes. "
        'Return only a JSON object of the form {"tags": ["tag", ...]}, no other text.'
    ),
    "assistant/tags_user.md": "Generate relevant tags for this note content: {{ content }}",
    "assistant/improve_system.md": (
        "You are a helpful assistant that improves writing while maintaining "
        "the original meaning and style."
    ),
    "assistant/improve_user.md": (
        "Improve this text while keeping its meaning and style: {{ content }}"
    ),
    "assistant/summary_system.md": (
        "You are a helpful assistant that generates concise summaries. "
        "Keep summaries to 2-3 sentences."
    ),
    "assistant/summary_user.md": "Generate a concise summary of this text: {{ content }}",
}


class PromptLoaderError(Exception):
    """Raised when a prompt cannot be loaded."""

    pass


class PromptLoader:
    """Load and render Jinja2 prompt templates.

    Example:
        >>> loader = PromptLoader()
        >>> loader.load("assistant/summary_user.md", {"content": "..."})
    """

    def __init__(self, prompts_dir: Optional[Path] = None) -> None:
        self.prompts_dir = prompts_dir

        if self.prompts_dir is not None and self.prompts_dir.is_dir():
            self.env = jinja2.Environment(
                loader=jinja2.FileSystemLoader(str(self.prompts_dir)),
                autoescape=False,  # Prompts are plain text, not HTML
                auto_reload=True,
                keep_trailing_newline=False,
            )
            logger.debug(
                "PromptLoader initialized with filesystem overrides",
                extra={"prompts_dir": str(self.prompts_dir)},
            )
        else:
            self.env = None
            if self.prompts_dir is not None:
                logger.warning(
                    "Prompts directory not found, using built-in prompts",
                    extra={"prompts_dir": str(self.prompts_dir)},
                )

    def load(self, path: str, context: Optional[Dict[str, Any]] = None) -> str:
        """Render the prompt at ``path`` with ``context``.

        Raises:
            PromptLoaderError: If the template is unknown or fails to render.
        """
        context = context or {}

        if self.env is not None:
            try:
                template = self.env.get_template(path)
                return template.render(**context)
            except jinja2.TemplateNotFound:
                logger.debug("No prompt override, using built-in", extra={"path": path})
            except jinja2.TemplateError as e:
                logger.error("Failed to render template", extra={"path": path, "error": str(e)})
                raise PromptLoaderError(f"Failed to render template {path}: {e}") from e

        return self._get_inline_prompt(path, context)

    def _get_inline_prompt(self, path: str, context: Dict[str, Any]) -> str:
        template_str = INLINE_PROMPTS.get(path)
        if template_str is None:
            raise PromptLoaderError(
                f"Prompt not found: {path}. Available prompts: {sorted(INLINE_PROMPTS)}"
            )
        try:
            return jinja2.Template(template_str, autoescape=False).render(**context)
        except jinja2.TemplateError as e:
            raise PromptLoaderError(f"Failed to render inline template {path}: {e}") from e

    def list_available(self) -> Dict[str, list[str]]:
        """Paths of filesystem overrides and built-in prompts."""
        result: Dict[str, list[str]] = {"filesystem": [], "inline": sorted(INLINE_PROMPTS)}
        if self.env is not None:
            for md_file in self.prompts_dir.rglob("*.md"):
                result["filesystem"].append(md_file.relative_to(self.prompts_dir).as_posix())
        return result


__all__ = ["PromptLoader", "PromptLoaderError", "INLINE_PROMPTS"]
