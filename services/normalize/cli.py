#!/usr/bin/env python3
"""
Jira to Memory Normalize CLI
Render raw Jira issues (e.g. a saved `jira issue list --raw` dump) as the
documents the ingest would save, without touching the memory worker
"""

import argparse
import json
import sys
from pathlib import Path

# Add parent directories to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

import structlog

from services.normalize.normalizer import TicketDecodeError, TicketNormalizer
from shared.schemas.ticket import CanonicalDocument

logger = structlog.get_logger()


def normalize_from_file(input_file: str, output_file: str = None) -> list[CanonicalDocument]:
    """Normalize issues from a JSON file"""
    with open(input_file, "r") as f:
        data = json.load(f)

    # Handle both a bare list and the REST {"issues": [...]} format
    if isinstance(data, dict) and "issues" in data:
        raw_issues = data["issues"]
    elif isinstance(data, list):
        raw_issues = data
    else:
        print("❌ Invalid input format", file=sys.stderr)
        return []

    normalizer = TicketNormalizer()
    normalized = []

    for raw in raw_issues:
        try:
            normalized.append(normalizer.normalize(raw))
        except TicketDecodeError as e:
            logger.warning("Failed to normalize issue", error=str(e))

    print(f"✅ Normalized {len(normalized)} of {len(raw_issues)} issues", file=sys.stderr)

    if output_file:
        with open(output_file, "w") as f:
            json.dump([doc.model_dump(mode="json") for doc in normalized], f, indent=2)
        print(f"   Saved to {output_file}", file=sys.stderr)

    return normalized


def main(argv=None):
    parser = argparse.ArgumentParser(description="Jira to Memory Normalize CLI")
    parser.add_argument("input", help="JSON file of raw Jira issues")
    parser.add_argument("--output", "-o", help="Write documents as JSON instead of printing them")

    args = parser.parse_args(argv)

    docs = normalize_from_file(args.input, args.output)
    if not args.output:
        for doc in docs:
            print(doc.body)
            print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
