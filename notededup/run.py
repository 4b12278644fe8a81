"""
Command-line runner.

    python -m notededup.run notes.json [--out result.json] [--summary] [--debug]

notes.json is a JSON list of {"text", "sourceRole"?, "sequenceIndex"?}
objects (or bare strings). Settings come from the NOTEDEDUP_* environment
variables / .env plus the flags below.
"""

import argparse
import json
import sys

from loguru import logger

from notededup.core.errors import ConfigError
from notededup.core.models import DeduplicationResult
from notededup.core.settings import build_settings, load_settings_from_env, merge_settings
from notededup.service import deduplicate


def print_report(result: DeduplicationResult):
    """
    Helper to pretty-print the final deduplication result.
    """
    print("\n" + "=" * 80)
    print(
        f" FINAL REPORT | {result.input_count} -> {result.output_count} notes "
        f"({result.reduction_percent}% reduction, {result.cluster_count} clusters)"
    )
    print("=" * 80 + "\n")

    if result.partial:
        print("⚠️  Deadline exceeded: result covers completed phases only.\n")

    for reason in result.skipped_inputs:
        print(f"   skipped: {reason}")

    if not result.notes:
        print("No notes survived.")
        return

    for note in result.notes:
        sources = ", ".join(str(i) for i in note.provenance)
        print(f"[ID {note.id}] {note.source_role.value.upper()} (seq {note.sequence_index}, from: {sources})")
        for line in note.text.splitlines():
            print(f"   {line}")
        print("-" * 60)

    stats = result.phase_stats
    print(f"Removed per phase: {stats.removed}")
    print(f"Complementary merges: {stats.merged} | Sentences removed: {stats.sentences_removed}")
    for err in stats.errors:
        print(f"❌ {err.phase}: {err.error_type}: {err.message}")


def main(argv=None):
    ap = argparse.ArgumentParser(description="Deduplicate clinical notes (JSON list).")
    ap.add_argument("input", help="Input file (JSON list of notes).")
    ap.add_argument("--out", default=None, help="Write the full result as JSON to this path.")
    ap.add_argument("--threshold-near", type=float, default=None, help="Near-duplicate threshold (default: 0.85).")
    ap.add_argument("--threshold-sentence", type=float, default=None,
                    help="Sentence duplicate threshold (default: 0.85).")
    ap.add_argument("--no-merge", action="store_true", help="Disable complementary merging.")
    ap.add_argument("--timeout", type=float, default=None, help="Deadline in seconds for the whole run.")
    ap.add_argument("--summary", action="store_true", help="Print the phase summary table.")
    ap.add_argument("--debug", action="store_true", help="Write a debug log under ./logs.")
    args = ap.parse_args(argv)

    # Standalone runs only: keep the terminal to warnings and errors
    logger.remove()
    logger.add(sys.stderr, format="<green>{time:H:mm:ss}</green> | <level>{level}</level> | {message}", level="WARNING")

    with open(args.input, "r", encoding="utf-8") as f:
        notes = json.load(f)

    cli = {
        "threshold_near": args.threshold_near,
        "threshold_sentence": args.threshold_sentence,
        "timeout_seconds": args.timeout,
    }
    if args.no_merge:
        cli["merge_complementary"] = False

    try:
        # flags win over the environment
        env_settings = load_settings_from_env().model_dump()
        settings = build_settings(merge_settings(env_settings, {k: v for k, v in cli.items() if v is not None}))
    except ConfigError as e:
        print(f"Configuration Error: {e}")
        return 2

    result = deduplicate(notes, settings=settings, debug=args.debug, show_summary=args.summary)
    print_report(result)

    if args.out:
        with open(args.out, "w", encoding="utf-8") as f:
            f.write(result.model_dump_json(indent=2))
        print(f"\nFull structured data saved to '{args.out}'")
    return 0


if __name__ == "__main__":
    sys.exit(main())
