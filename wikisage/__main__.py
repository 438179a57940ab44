"""Main entry point for wikisage when run as a module"""

import logging
import sys

# Force UTF-8 output on Windows (box drawing characters in the banner)
if sys.stdout.encoding and sys.stdout.encoding.lower() not in ('utf-8', 'utf8'):
    try:
        sys.stdout.reconfigure(encoding='utf-8', errors='replace')
        sys.stderr.reconfigure(encoding='utf-8', errors='replace')
    except Exception:
        pass

# ── Root logger ──────────────────────────────────────────────────────────────
logging.basicConfig(level=logging.WARNING, format='%(levelname)s: %(message)s')

# ── Silence specific verbose libraries ──────────────────────────────────────
for _noisy in ('urllib3', 'requests', 'wikisage.search', 'wikisage.wikipedia'):
    logging.getLogger(_noisy).setLevel(logging.ERROR)

from wikisage.cli import main  # noqa: E402

if __name__ == '__main__':
    main()
