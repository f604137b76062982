"""Conversation ledger: models, durable persistence, summaries, background saves."""

from mnemo.ledger.conversation import ASSISTANT, SYSTEM, YOU, Conversation, Message
from mnemo.ledger.durable import DurableWriter
from mnemo.ledger.ledger import ConversationIndexEntry, ConversationLedger
from mnemo.ledger.save_queue import SaveQueue
from mnemo.ledger.summarizer import ConversationSummarizer

__all__ = [
    "ASSISTANT",
    "SYSTEM",
    "YOU",
    "Conversation",
    "ConversationIndexEntry",
    "ConversationLedger",
    "ConversationSummarizer",
    "DurableWriter",
    "Message",
    "SaveQueue",
]
