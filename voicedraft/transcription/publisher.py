"""Transcription publisher for live partial results."""

import logging
from typing import Callable

from pubsub import pub

from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)

INTERIM_TOPIC = "transcription.interim"


class TranscriptionPublisher:
    """Publishes transcription results using pubsub.pub."""

    def __init__(self, topic: str = INTERIM_TOPIC):
        """Initialize transcription publisher.

        Args:
            topic: Pub/sub topic name for transcription results
        """
        self.topic = topic
        logger.info(f"TranscriptionPublisher initialized with topic: {topic}")

    def publish_transcription_result(self, result: TranscriptionResult) -> None:
        """Publish a transcription result to the pub/sub topic."""
        pub.sendMessage(self.topic, result=result)
        logger.debug(f"Published transcription result: chunk {result.chunk_index} "
                     f"(final={result.is_final})")

    def get_callback(self) -> Callable[[TranscriptionResult], None]:
        """Get callback suitable for TranscriptionPipeline's on_interim."""
        return self.publish_transcription_result
