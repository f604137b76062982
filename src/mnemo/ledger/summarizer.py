"""Conversation summarizer — refresh summary + embedding after assistant replies.

The summary is what gets embedded and searched, so it is regenerated only when
the newest message is the assistant's; user messages alone never trigger a
provider round-trip.
"""

from __future__ import annotations

import logging

from mnemo.ledger.conversation import Conversation
from mnemo.llm.client import LanguageModel

log = logging.getLogger(__name__)

_SUMMARY_PROMPT = """\
You are a conversation archivist. Summarize the following chat transcript in \
a short paragraph (max 120 words) that will be embedded for semantic search. \
Name the concrete topics, decisions, files and facts discussed. Do not add \
commentary."""

_DEFAULT_MAX_CHARS = 16_000


class ConversationSummarizer:
    """Generate the summary and embedding of a conversation.

    Args:
        llm:       Provider of ``quick_complete`` and ``embed``.
        max_chars: Transcript budget; longer transcripts keep their tail.
    """

    def __init__(self, llm: LanguageModel, max_chars: int = _DEFAULT_MAX_CHARS) -> None:
        self._llm = llm
        self._max_chars = max_chars

    def refresh(self, conversation: Conversation) -> bool:
        """Recompute summary and embedding if the last message is the assistant's.

        Returns True if the conversation was updated. Provider failures
        propagate as ProviderError; the conversation is left unchanged.
        """
        if not conversation.needs_summary():
            return False

        transcript = conversation.transcript()
        if len(transcript) > self._max_chars:
            transcript = transcript[-self._max_chars:]

        summary = self._llm.quick_complete(_SUMMARY_PROMPT, transcript)
        if not summary:
            log.warning("Empty summary for conversation %s; keeping the old one", conversation.uuid)
            return False

        embedding = self._llm.embed(summary)
        conversation.set_summary(summary, embedding)
        log.debug("Refreshed summary of conversation %s", conversation.uuid)
        return True
