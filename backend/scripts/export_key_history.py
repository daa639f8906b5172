"""
Print the recorded change history of a grading key.

Reads the grading_key_changes audit table and renders the same plain-text
report the engine produces, e.g.:

    python scripts/export_key_history.py 3f2c...-key-id
    python scripts/export_key_history.py 3f2c...-key-id --output history.txt
"""
import argparse
import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import logging

from gradekeys.wiring.bootstrap import configure_logging, get_key_engine

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Export grading key change history")
    parser.add_argument("key_id", help="Grading key id")
    parser.add_argument("--output", "-o", type=Path, help="Write the report to this file")
    args = parser.parse_args()

    configure_logging()
    report = get_key_engine().export_change_history(args.key_id)

    if args.output:
        args.output.write_text(report, encoding="utf-8")
        logger.info(f"Wrote change history for {args.key_id} to {args.output}")
    else:
        print(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
