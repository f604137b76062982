"""Background persistence for conversations.

Saves run on a single worker thread, so they execute in submission order and
the three persistence steps of one save never interleave with another's. The
caller gets a Future back immediately and is never blocked by disk or provider
latency; :meth:`SaveQueue.shutdown` drains what is pending before exit.
"""

from __future__ import annotations

import copy
import logging
from concurrent.futures import Future, ThreadPoolExecutor

from mnemo.errors import MnemoError
from mnemo.ledger.conversation import Conversation
from mnemo.ledger.ledger import ConversationLedger
from mnemo.ledger.summarizer import ConversationSummarizer

log = logging.getLogger(__name__)


class SaveQueue:
    """Fire-and-forget save jobs with an optional join point.

    Each job refreshes the summary (when the last message is the assistant's)
    and then saves. A summary failure is logged and the save still happens
    with the previous summary. Jobs never raise into the returned Future;
    its result is the list of persistence failures.
    """

    def __init__(
        self,
        ledger: ConversationLedger,
        summarizer: ConversationSummarizer | None = None,
    ) -> None:
        self._ledger = ledger
        self._summarizer = summarizer
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="mnemo-save")
        self._closed = False

    def submit(self, conversation: Conversation) -> Future[list[Exception]]:
        """Queue a save of *conversation*.

        Raises:
            RuntimeError: If the queue has been shut down.
        """
        if self._closed:
            raise RuntimeError("SaveQueue is shut down")
        return self._executor.submit(self._run, conversation)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting jobs; with *wait*, block until pending saves finish."""
        self._closed = True
        self._executor.shutdown(wait=wait)

    def _run(self, conversation: Conversation) -> list[Exception]:
        if self._summarizer is not None:
            try:
                self._summarizer.refresh(conversation)
            except MnemoError as exc:
                log.warning("Could not refresh summary of %s: %s", conversation.uuid, exc)

        # Snapshot so a message appended mid-save does not tear the transcript.
        snapshot = copy.copy(conversation)
        snapshot.messages = list(conversation.messages)
        try:
            return self._ledger.save(snapshot)
        except Exception as exc:
            # Background job: nothing above us to report to.
            log.exception("Unexpected error saving conversation %s", conversation.uuid)
            return [exc]

    def __enter__(self) -> SaveQueue:
        return self

    def __exit__(self, *args: object) -> None:
        self.shutdown(wait=True)
