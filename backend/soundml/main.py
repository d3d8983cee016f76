"""Command line entrypoint: replay a WAV file through a StreamAnalyzer."""
import argparse
import sys
from typing import List, Optional
from soundml.audio.ingestion import read_wav
from soundml.classifiers.mock import MockClassifierFactory
from soundml.core.config import settings
from soundml.core.logging import logger, setup_logging
from soundml.matching.groups import GroupMatch, SoundGroup
from soundml.matching.sound import Sound, SoundType
from soundml.services.analyzer import StreamAnalyzer


def parse_group(value: str) -> SoundGroup:
    """
    Parse a group argument.

    Accepted forms:
        clapping:0.7                       single sound, id "clapping"
        rudeness=cough:0.5,sneeze:0.6      named group of several sounds

    Known sound labels are accepted in any case.
    """
    group_id = None
    if "=" in value:
        group_id, value = value.split("=", 1)

    sounds = []
    for part in value.split(","):
        label, sep, threshold = part.rpartition(":")
        if not sep or not label:
            raise argparse.ArgumentTypeError(f"Expected label:threshold, got '{part}'")
        try:
            sounds.append(Sound(label=SoundType.from_string(label) or label, threshold=float(threshold)))
        except ValueError as e:
            raise argparse.ArgumentTypeError(str(e))

    if group_id is None:
        group_id = sounds[0].label if len(sounds) == 1 else ",".join(s.label for s in sounds)
    return SoundGroup(id=group_id, sounds=sounds)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Detect sound groups in a WAV file")
    parser.add_argument("wav", help="16-bit PCM WAV file to analyze")
    parser.add_argument("-g", "--group", dest="groups", type=parse_group, action="append", required=True,
                        help="label:threshold or id=label:threshold,label:threshold (repeatable)")
    parser.add_argument("--window", type=float, default=settings.window_duration,
                        help="analysis window in seconds")
    parser.add_argument("--buffer-length", type=int, default=settings.buffer_length,
                        help="frames per captured buffer")
    parser.add_argument("--mock", action="store_true",
                        help="use the random mock classifier instead of the ONNX model")
    return parser


def format_matches(matches: List[GroupMatch]) -> str:
    return ", ".join(f"{m.group.id}: {m.sound.label} {int(m.confidence * 100)}%" for m in matches)


def main(argv: Optional[List[str]] = None) -> int:
    setup_logging()
    args = build_parser().parse_args(argv)

    factory = MockClassifierFactory(detection_probability=0.5) if args.mock else None
    buffers = read_wav(args.wav, buffer_length=args.buffer_length)

    matched_windows = 0
    errors = 0

    def on_update(matched: bool, matches: Optional[List[GroupMatch]]) -> None:
        nonlocal matched_windows
        if matched:
            matched_windows += 1
            logger.info(f"Matched {format_matches(matches)}")

    def on_error(error: Exception) -> None:
        nonlocal errors
        errors += 1
        logger.error(f"Analysis error: {error}")

    with StreamAnalyzer(classifier_factory=factory, window_duration=args.window, sound_groups=args.groups) as analyzer:
        analyzer.on_update = on_update
        analyzer.on_error = on_error
        analyzer.process_buffers(buffers)
        analyzer.join(None)

    logger.info(f"{len(buffers)} buffers analyzed, {matched_windows} matching windows, {errors} errors")
    return 1 if errors else 0


if __name__ == "__main__":
    sys.exit(main())
