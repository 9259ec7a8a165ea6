"""Load a position x GEO spreadsheet into the rankings tables.

    python scripts/import_rankings.py top_picks.xlsx
"""
import argparse
import logging
from subtrack.db.repo import get_session
from subtrack.db.session import init_db
from subtrack.logging_conf import configure_logging
from subtrack.services.importer import import_rankings_frame, read_workbook

log = logging.getLogger("import_rankings")


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("path", help="Excel workbook; first sheet is read")
    args = parser.parse_args(argv)

    configure_logging()
    init_db()
    frame = read_workbook(args.path)
    with get_session() as db:
        summary = import_rankings_frame(db, frame)
    log.info("GEOs created: %s", ", ".join(summary.geos_created) or "none")
    log.info("brands created: %d, rankings created: %d", len(summary.brands_created), summary.rankings_created)
    for item in summary.skipped:
        log.warning("skipped %s", item)


if __name__ == "__main__":
    main()
