"""Manager for assistant output transcripts.

Text and audio transcripts stream in as deltas keyed by item id. This module
accumulates them so the complete message is available when the server closes
the content part, and keeps the finished transcripts for both directions.
"""

from typing import Dict, List, Optional, Tuple

from voicewire.config.logging_config import configure_logging
from voicewire.models.openai_api import MessageRole

logger = configure_logging("transcript_manager")


class TranscriptManager:
    """Buffers transcript deltas and records completed transcripts.

    Attributes:
        output_buffers (Dict[str, List[str]]): Pending assistant deltas by item id
        completed (List[Tuple[MessageRole, str]]): Finished transcripts in order
    """

    def __init__(self):
        self.output_buffers: Dict[str, List[str]] = {}
        self.completed: List[Tuple[MessageRole, str]] = []

    def handle_output_delta(self, item_id: Optional[str], delta: str) -> None:
        """Accumulate a piece of assistant text or audio transcript."""
        if delta:
            self.output_buffers.setdefault(item_id or "", []).append(delta)
        logger.debug(f"Received output delta for {item_id}: {delta}")

    def handle_output_completed(self, item_id: Optional[str], final: Optional[str] = None) -> str:
        """Finish an assistant transcript.

        Args:
            item_id: The item the deltas belonged to
            final: The server's complete text, preferred over the buffered deltas

        Returns:
            str: The complete transcript
        """
        buffered = "".join(self.output_buffers.pop(item_id or "", []))
        text = final if final is not None else buffered
        if text.strip():
            self.completed.append((MessageRole.ASSISTANT, text))
        logger.info(f"Assistant transcript: {text}")
        return text

    def handle_input_completed(self, transcript: str) -> None:
        """Record a finished transcription of the user's audio."""
        if transcript.strip():
            self.completed.append((MessageRole.USER, transcript))
        logger.info(f"User transcript (input audio): {transcript}")

    def reset(self) -> None:
        self.output_buffers.clear()
        self.completed.clear()
