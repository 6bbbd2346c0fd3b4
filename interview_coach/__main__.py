#!/usr/bin/env python3
"""
Main entry point for the interview practice scoring engine.
Allows running the package with: python -m interview_coach

Replays a recorded capture (JSON lines) through one practice session:

    {"t": 1.2, "type": "landmarks", "confidence": 0.9, "points": [[x, y, z], ...]}
    {"t": 1.3, "type": "audio", "bins": [0, 12, ...], "sample_rate": 48000}
    {"t": 9.0, "type": "transcript", "text": "I am a software engineer..."}

"t" is seconds since the question appeared; records without it replay at
the current session time.
"""
import json
import logging
import random
import sys
from typing import Any, Dict, Iterator

from .config import get_config
from .utils.logging import setup_logging
from .utils.timers import ManualScheduler
from .infrastructure.audio import AudioStreamAnalyzer
from .infrastructure.judge import JudgeClient
from .interview.events import EventType
from . import SessionStateMachine, SessionPhase

logger = logging.getLogger("main")


def read_capture(path: str) -> Iterator[Dict[str, Any]]:
    """Yield capture records in file order, skipping blank and malformed lines."""
    with open(path, "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning("Skipping malformed capture line %d: %s", line_no, e)
                continue
            if not isinstance(record, dict) or "type" not in record:
                logger.warning("Skipping capture line %d without a record type", line_no)
                continue
            yield record


def replay(machine: SessionStateMachine, scheduler: ManualScheduler, capture_path: str) -> None:
    """Feed capture records to an active session on its manual clock."""
    question_start = scheduler.now()
    for record in read_capture(capture_path):
        if "t" in record:
            scheduler.advance_to(question_start + float(record["t"]))
        if machine.phase != SessionPhase.ACTIVE:
            print("⏰ Time limit reached before the capture ended")
            break

        kind = record["type"]
        if kind == "landmarks":
            machine.on_landmarks(record.get("points") or None, record.get("confidence"))
        elif kind == "audio":
            analyzer = machine.audio_analyzer
            if "sample_rate" in record and analyzer.tick_count == 0:
                analyzer.sample_rate = float(record["sample_rate"])
            machine.on_audio_buffer(record.get("bins") or [])
        elif kind == "transcript":
            machine.update_transcript(record.get("text", ""))
        else:
            logger.warning("Unknown capture record type: %s", kind)


def main():
    """Command-line interface for replaying a practice session."""

    capture_path = None
    answer = None
    judge_url = None
    sensitivity = None
    seed = None
    for arg in sys.argv[1:]:
        if arg.startswith("--capture="):
            capture_path = arg.split("=", 1)[1]
        elif arg.startswith("--answer="):
            answer = arg.split("=", 1)[1]
        elif arg.startswith("--judge-url="):
            judge_url = arg.split("=", 1)[1]
        elif arg.startswith("--sensitivity="):
            try:
                sensitivity = float(arg.split("=", 1)[1])
                sensitivity = max(0.0, min(1.0, sensitivity))  # Clamp 0-1
            except (ValueError, IndexError):
                print("❌ Invalid sensitivity value. Use --sensitivity=0.0 to --sensitivity=1.0")
                sys.exit(1)
        elif arg.startswith("--seed="):
            try:
                seed = int(arg.split("=", 1)[1])
            except (ValueError, IndexError):
                print("❌ Invalid seed value. Use --seed=<integer>")
                sys.exit(1)
        elif arg in ("-h", "--help"):
            print("Usage: python -m interview_coach --capture=PATH [--answer=TEXT] "
                  "[--judge-url=URL] [--sensitivity=0.0-1.0] [--seed=N]")
            return
        else:
            print(f"❌ Unknown argument: {arg}")
            sys.exit(1)

    if not capture_path:
        print("❌ Missing --capture=PATH (JSON lines of landmarks, audio and transcript records)")
        sys.exit(1)

    # Load configuration from environment
    try:
        config = get_config(judge_api_url=judge_url)
    except ValueError as e:
        print(f"❌ Configuration Error: {e}")
        sys.exit(1)

    log_path = setup_logging(config.log_file, config.log_level)
    if sensitivity is None:
        sensitivity = config.mic_sensitivity

    print(f"⚖️  Judge: {config.judge_api_url}")
    print(f"🎙️  Mic sensitivity: {sensitivity:.2f}")

    scheduler = ManualScheduler()
    machine = SessionStateMachine(
        judge_client=JudgeClient(config.judge_api_url, timeout=config.judge_timeout),
        countdown_seconds=config.countdown_seconds,
        time_limit=config.question_time_limit,
        scheduler=scheduler,
        rng=random.Random(seed),
        audio_analyzer=AudioStreamAnalyzer(sensitivity=sensitivity),
        detection_confidence=config.detection_confidence,
    )
    machine.event_bus.subscribe(
        EventType.QUESTION_STARTED,
        lambda event: print(f"❓ Question: {event.data['question']}")
    )

    machine.start()
    scheduler.advance(config.countdown_seconds)

    try:
        replay(machine, scheduler, capture_path)
    except OSError as e:
        print(f"❌ Could not read capture: {e}")
        machine.cancel()
        sys.exit(1)

    if answer is not None:
        machine.update_transcript(answer)

    result = machine.submit() if machine.phase == SessionPhase.ACTIVE else machine.result
    if result is None:
        print("❌ Session ended without a result")
        sys.exit(1)

    print(f"\n🏁 Grade {result.grade}: {result.total_score}/100")
    print(f"🙂 Face score: {result.face_score:.1f} "
          f"(eye {result.face_score_details.eye_contact:.1f}, "
          f"stability {result.face_score_details.stability:.1f}, "
          f"posture {result.face_score_details.posture:.1f})")
    if result.used_default_score:
        print(f"⚠️  {result.ai_feedback}")
    else:
        print(f"🤖 Content score: {result.ai_score:.0f} - {result.ai_feedback}")
    print(f"💬 {result.feedback}")
    print(f"🔈 Audio score (not graded): {machine.audio_score():.1f}")
    print(f"📄 Log: {log_path}")


if __name__ == "__main__":
    main()
