"""Variable store and ``${name}`` / ``$(name)`` substitution."""

import re
from collections.abc import Iterator, Mapping

_TOKEN_RE = re.compile(r"\$\{([^{}]*)\}|\$\(([^()]*)\)")


class VariableStore:
    """
    Name to value bindings used to resolve step parameters.

    Bindings are layered during context setup (later ``set`` calls overwrite
    earlier ones) and the store is frozen before any step executes.
    """

    def __init__(self, initial: Mapping[str, str] | None = None):
        self._values: dict[str, str] = {}
        self._frozen = False
        if initial:
            self.update(initial)

    def set(self, name: str, value: str) -> None:
        if self._frozen:
            raise RuntimeError(f"Variable store is read-only, cannot set {name!r}")
        self._values[name] = "" if value is None else str(value)

    def update(self, values: Mapping[str, str]) -> None:
        """Apply a layer of bindings, overwriting same-named entries."""
        for name, value in values.items():
            self.set(name, value)

    def get(self, name: str) -> str:
        """Get a value, or an empty string when unbound."""
        return self._values.get(name, "")

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def as_dict(self) -> dict[str, str]:
        return dict(self._values)

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def resolve(self, text: str | None) -> str | None:
        """
        Substitute bound variables in text.

        Both ``${name}`` and ``$(name)`` are replaced in a single scan of the
        template, so substituted values are never scanned again and the
        result does not depend on the order variables were bound in.
        References to unbound names are left as written.

        Args:
            text: Template text (None and "" are returned unchanged)

        Returns:
            The resolved text
        """
        if not text:
            return text

        def substitute(match: re.Match) -> str:
            name = match.group(1) if match.group(1) is not None else match.group(2)
            if name in self._values:
                return self._values[name]
            return match.group(0)

        return _TOKEN_RE.sub(substitute, text)
