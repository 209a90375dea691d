"""Main application entry point for VoiceDraft."""

import sys
import asyncio
import argparse
import logging
from pathlib import Path

from .config import VoiceDraftConfig
from .exceptions import VoiceDraftError
from .llm import EventChannel
from .services import DictationService

logger = logging.getLogger(__name__)


def setup_logging(config: VoiceDraftConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'logs/voicedraft.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("VoiceDraft starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


async def _print_stream(service: DictationService, text: str, mode_id: str) -> None:
    channel = EventChannel()

    async def consume() -> None:
        async for event in channel:
            print(event.content, end="", flush=True)
        print()

    await asyncio.gather(service.process_stream(text, mode_id, channel), consume())


async def _dictate(service: DictationService, duration: float, mode_id: str, stream: bool) -> None:
    service.start_recording()
    try:
        print(f"Recording for {duration:g}s...", file=sys.stderr)
        await asyncio.sleep(duration)
    finally:
        recording = service.stop_recording()

    transcript = await service.transcribe_recording(recording)
    print(f"Transcript: {transcript.text}", file=sys.stderr)

    if stream:
        await _print_stream(service, transcript.text, mode_id)
    else:
        response = await service.process(transcript.text, mode_id)
        print(response.text)
        if response.usage:
            logger.info(f"Token usage: {response.usage.total_tokens} total "
                        f"({response.model})")


def main() -> None:
    """Main entry point for VoiceDraft."""
    parser = argparse.ArgumentParser(
        description="VoiceDraft - dictate, transcribe and polish text",
    )

    parser.add_argument(
        "--config",
        type=str,
        required=True,
        help="Path to configuration YAML file"
    )

    parser.add_argument(
        "--mode",
        type=str,
        default="raw",
        help="Dictation mode id from the configuration (default: raw)"
    )

    parser.add_argument(
        "--duration",
        type=float,
        default=5.0,
        help="Recording duration in seconds (default: 5)"
    )

    parser.add_argument(
        "--stream",
        action="store_true",
        help="Stream the post-processed text as it is generated"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (overrides config)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="VoiceDraft v0.1.0"
    )

    args = parser.parse_args()

    try:
        config = VoiceDraftConfig(args.config)
        setup_logging(config, args.log_level or config.get('logging.level', 'INFO'))
        service = DictationService(config)
        try:
            asyncio.run(_dictate(service, args.duration, args.mode, args.stream))
        finally:
            service.close()
    except KeyboardInterrupt:
        print("\nGoodbye!", file=sys.stderr)
    except VoiceDraftError as e:
        print(f"Error: {e}", file=sys.stderr)
        logger.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
