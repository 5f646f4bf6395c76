"""End-to-end demo: start day -> voice input -> answers -> feedback -> progress."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from care_intelligence.config import AppConfig  # noqa: E402
from care_intelligence.pipeline import CarePipeline  # noqa: E402


DEMO_USER = "parent1"

DEMO_TRANSCRIPTS = [
    "I need to brush my teeth",
    "Walk the dog after school",
    "I feel happy about lunch",
    "I was a bit angry on the bus",
]

DEMO_CHAT = [
    "He had a good morning and ate breakfast.",
    "Bedtime was bad, he got anxious.",
    "Great progress on getting dressed!",
    "Today felt better than yesterday.",
    "Excellent focus during homework.",
]


def main() -> None:
    config_path = PROJECT_ROOT / "config.yaml"
    config = AppConfig.from_yaml(str(config_path)) if config_path.exists() else AppConfig()
    logging.basicConfig(level=config.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    pipeline = CarePipeline(config)

    therapist = pipeline.therapists()[0]
    state = pipeline.start_day(DEMO_USER, therapist.id)
    print(f"== Day {state.day} with {therapist.name} ==")
    for q in state.questions:
        print(f"{q.emoji} {q.text}")

    print("\n== Voice Input ==")
    for transcript in DEMO_TRANSCRIPTS:
        outcome = pipeline.handle_transcript(DEMO_USER, transcript)
        label = getattr(outcome.record, "label", "-")
        print(f"{transcript!r} -> {outcome.intent.intent} ({label}) {outcome.reply or ''}")

    routines = pipeline.store.get_routines(DEMO_USER)
    if routines:
        pipeline.toggle_routine(DEMO_USER, routines[0].id, True)
    if state.questions:
        pipeline.answer_question(DEMO_USER, state.questions[0].id, "Slept well, woke up once.")

    for text in DEMO_CHAT:
        pipeline.send_message(DEMO_USER, therapist.id, text)

    report = pipeline.complete_day(DEMO_USER)
    print("\n== Feedback Report ==")
    print(f"[{report.points} pts] {report.text}")

    progress = pipeline.progress_report(DEMO_USER, therapist.id)
    print("\n== Wellness Index ==")
    for point in progress.wellness:
        print(f"{point.day}: {point.score:.1f}")
    print("\n== Emotions ==")
    shares = pipeline.analytics.emotion_shares(progress.emotions)
    for bucket in progress.emotions:
        print(f"{bucket.label}: {bucket.count} ({shares[bucket.label]}%) {bucket.color}")
    print(f"Insight: {progress.insight}")
    print("\n== Routine Adherence ==")
    for stat in progress.routines:
        print(f"{stat.day}: {stat.completed}/{stat.total}")


if __name__ == "__main__":
    main()
