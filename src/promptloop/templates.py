# src/promptloop/templates.py
"""
Prompt templates and variable bindings.

Prompts are stored unexpanded and expanded only when they are sent, so a
variable bound after the prompt was attached still resolves. Placeholders
use ``$name`` or ``${name}``. Any other ``$`` (including ``$$``) is
left as written, so shell snippets and prices pass through unchanged.
"""

import logging
from string import Template
from typing import Dict, Iterator, List, Mapping, Optional

from .config.models import UndefinedVariablePolicy
from .exceptions import TemplateVariableError

logger = logging.getLogger(__name__)


class _PromptPattern(Template):
    """string.Template without the ``$$`` escape."""

    pattern = r"""
    \$(?:
      (?P<escaped>(?!))                   |  # never matches: no escape sequence
      (?P<named>(?a:[_a-z][_a-z0-9]*))    |
      {(?P<braced>(?a:[_a-z][_a-z0-9]*))} |
      (?P<invalid>)
    )
    """


class VariableBindings(Mapping[str, str]):
    """
    Immutable mapping of prompt variable names to string values.

    ``set`` returns a new instance; existing keys are overwritten. There is
    no deletion.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Optional[Mapping[str, str]] = None):
        self._values: Dict[str, str] = dict(values or {})

    def set(self, name: str, value: str) -> "VariableBindings":
        if not name:
            raise ValueError("Variable name must not be empty.")
        updated = dict(self._values)
        updated[name] = str(value)
        return VariableBindings(updated)

    def __getitem__(self, name: str) -> str:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"VariableBindings({self._values!r})"


class PromptTemplate:
    """A prompt string with named placeholders."""

    def __init__(self, text: str):
        self.text = text
        self._template = _PromptPattern(text)

    def placeholders(self) -> List[str]:
        """Names referenced by the template, in order of first appearance."""
        names: List[str] = []
        for match in self._template.pattern.finditer(self.text):
            name = match.group("named") or match.group("braced")
            if name and name not in names:
                names.append(name)
        return names

    def expand(
        self,
        bindings: Mapping[str, str],
        policy: UndefinedVariablePolicy = UndefinedVariablePolicy.KEEP,
    ) -> str:
        """
        Expand the template against ``bindings``.

        Args:
            bindings: Variable values.
            policy: What to do with placeholders that have no binding.
                    KEEP leaves them verbatim, EMPTY substitutes an empty
                    string, ERROR raises.

        Raises:
            TemplateVariableError: If unbound placeholders exist under the ERROR policy.
        """
        missing = [name for name in self.placeholders() if name not in bindings]
        values = dict(bindings)
        if missing:
            if policy == UndefinedVariablePolicy.ERROR:
                raise TemplateVariableError(missing)
            if policy == UndefinedVariablePolicy.EMPTY:
                values.update({name: "" for name in missing})
            else:
                logger.warning(f"Prompt references unbound variables, left unexpanded: {missing}")
        return self._template.safe_substitute(values)


def expand(text: str, bindings: Mapping[str, str],
           policy: UndefinedVariablePolicy = UndefinedVariablePolicy.KEEP) -> str:
    """Expand ``text`` against ``bindings``."""
    return PromptTemplate(text).expand(bindings, policy)
