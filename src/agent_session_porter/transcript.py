"""Read-only helpers over host transcript entries.

Host record files are JSON lines; each entry is a map whose ``type`` is
``"user"``, ``"assistant"``, ``"summary"`` and so on.  Only a handful of
fields are interpreted here and always defensively, since the host owns
the schema.
"""
from __future__ import annotations

from typing import Any

from agent_session_porter.document import Document

SUMMARY_LIMIT = 60
NO_MESSAGES = "No messages"


def _text_of(content: Any) -> str | None:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        for block in content:
            if (
                isinstance(block, dict)
                and block.get("type") == "text"
                and isinstance(block.get("text"), str)
            ):
                return block["text"]
    return None


def first_user_text(entries: list[Document]) -> str | None:
    """Return the text of the earliest user-authored message, if any.

    Meta entries injected by the host (``isMeta``) and tool results are
    not user-authored and are skipped.
    """
    for entry in entries:
        if not isinstance(entry, dict) or entry.get("type") != "user":
            continue
        if entry.get("isMeta"):
            continue
        message = entry.get("message")
        if not isinstance(message, dict):
            continue
        text = _text_of(message.get("content"))
        if text and text.strip():
            return text
    return None


def summarize(entries: list[Document], limit: int = SUMMARY_LIMIT) -> str:
    """Return a one-line human summary of a transcript."""
    text = first_user_text(entries)
    if text is None:
        return NO_MESSAGES
    text = " ".join(text.split())
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def git_branch(entries: list[Document]) -> str | None:
    """Return the first non-empty ``gitBranch`` recorded in *entries*."""
    for entry in entries:
        if isinstance(entry, dict):
            branch = entry.get("gitBranch")
            if isinstance(branch, str) and branch:
                return branch
    return None


def working_directory(entries: list[Document]) -> str | None:
    """Return the first ``cwd`` recorded in *entries*."""
    for entry in entries:
        if isinstance(entry, dict):
            cwd = entry.get("cwd")
            if isinstance(cwd, str) and cwd:
                return cwd
    return None


def rebind_session_id(entries: list[Document], old_id: str, new_id: str) -> list[Document]:
    """Return copies of *entries* whose top-level ``sessionId`` moves from *old_id* to *new_id*.

    Entries that reference a different session (or none) are returned as-is.
    """
    rebound: list[Document] = []
    for entry in entries:
        if isinstance(entry, dict) and entry.get("sessionId") == old_id:
            entry = {**entry, "sessionId": new_id}
        rebound.append(entry)
    return rebound
