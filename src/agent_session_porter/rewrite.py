"""Rewriting of project-root path prefixes inside session documents.

Only string values that *are* the source root, or that start with the
source root followed by a path separator, are rewritten.  There is no
"looks like a path" detection: a transcript message that merely mentions a
path inside running text is left alone, as is ``/Users/alice/app-other``
for a source root of ``/Users/alice/app``.

Classes
-------
PathMapping
    A single ``source_root -> target_root`` prefix substitution.
RewriteResult
    The rewritten document plus the number of fields changed.

Functions
---------
rewrite_paths
    Apply a mapping to a document.
"""
from __future__ import annotations

from dataclasses import dataclass

from agent_session_porter.document import Document

_POSIX_SEP = "/"
_WINDOWS_SEP = "\\"


def _separator_for(root: str) -> str:
    if _WINDOWS_SEP in root and _POSIX_SEP not in root:
        return _WINDOWS_SEP
    return _POSIX_SEP


def _strip_trailing_separators(root: str, sep: str) -> str:
    stripped = root.rstrip(sep)
    # The filesystem root itself ("/") has nothing left to strip to.
    return stripped or sep


@dataclass(frozen=True)
class PathMapping:
    """A prefix substitution from *source_root* to *target_root*.

    Trailing separators are removed from both roots, so ``/a/b/`` and
    ``/a/b`` describe the same mapping.

    Parameters
    ----------
    source_root:
        The project root recorded at export time.
    target_root:
        The project root in the importing environment.

    Raises
    ------
    ValueError
        If either root is empty.
    """

    source_root: str
    target_root: str

    def __post_init__(self) -> None:
        if not self.source_root:
            raise ValueError("PathMapping.source_root must not be empty")
        if not self.target_root:
            raise ValueError("PathMapping.target_root must not be empty")
        sep = _separator_for(self.source_root)
        object.__setattr__(
            self, "source_root", _strip_trailing_separators(self.source_root, sep)
        )
        object.__setattr__(
            self,
            "target_root",
            _strip_trailing_separators(self.target_root, _separator_for(self.target_root)),
        )

    @property
    def separator(self) -> str:
        """Path separator used to bound prefix matches."""
        return _separator_for(self.source_root)

    @property
    def is_identity(self) -> bool:
        """True when the mapping would change nothing."""
        return self.source_root == self.target_root

    def _under(self, value: str, root: str) -> bool:
        if value == root:
            return True
        prefix = root if root.endswith(self.separator) else root + self.separator
        return value.startswith(prefix)

    def matches(self, value: str) -> bool:
        """Return True when *value* is the source root or lies beneath it."""
        return self._under(value, self.source_root)

    def apply(self, value: str) -> str | None:
        """Return the rewritten form of *value*, or ``None`` if it does not match.

        When the target root itself lies beneath the source root, values
        already under the target root are treated as rewritten; this keeps
        the rewrite idempotent.
        """
        if self.is_identity or not self.matches(value):
            return None
        if self.matches(self.target_root) and self._under(value, self.target_root):
            return None
        sep = self.separator
        rest = value[len(self.source_root):]
        if rest and self.source_root.endswith(sep):
            rest = sep + rest
        if rest and self.target_root.endswith(sep):
            rest = rest[len(sep):]
        return self.target_root + rest


@dataclass(frozen=True)
class RewriteResult:
    """Outcome of :func:`rewrite_paths`.

    Parameters
    ----------
    document:
        A new document with matching string values rewritten.
    fields_rewritten:
        Number of string values that changed.
    """

    document: Document
    fields_rewritten: int


def rewrite_paths(document: Document, mapping: PathMapping) -> RewriteResult:
    """Rewrite every source-root-prefixed string value in *document*.

    The input is not modified.  Maps and lists are rebuilt, map keys are
    kept as-is, and non-string scalars are copied through.  This function
    never raises for any well-formed document.

    Parameters
    ----------
    document:
        The session document to rewrite.
    mapping:
        The prefix substitution to apply.

    Returns
    -------
    RewriteResult
        The rewritten copy and the count of fields touched.
    """
    count = 0

    def _walk(node: Document) -> Document:
        nonlocal count
        if isinstance(node, str):
            rewritten = mapping.apply(node)
            if rewritten is None:
                return node
            count += 1
            return rewritten
        if isinstance(node, dict):
            return {key: _walk(value) for key, value in node.items()}
        if isinstance(node, list):
            return [_walk(item) for item in node]
        return node

    return RewriteResult(document=_walk(document), fields_rewritten=count)
