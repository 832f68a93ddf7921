"""
Main entrypoint: runs the rent-reclaim CLI.

    python main.py reclaim            # dry-run over the whole index
    python main.py reclaim --live     # sign and submit
    python main.py serve              # read-only dashboard

Env: RECLAIM_RPC_URL, RECLAIM_KEYPAIR_PATH, RECLAIM_TREASURY_ADDRESS, RECLAIM_INDEX_PATH,
RECLAIM_AUDIT_LOG_PATH, RECLAIM_DB_URL, DRY_RUN, LOG_LEVEL, etc. (.env is honoured).
"""

import sys

# Configure structured JSON logging before other imports that may log
from rent_reclaim.reclaim_logging import get_logger

logger = get_logger("main")


def main() -> int:
    from rent_reclaim.cli import main as cli_main

    return cli_main(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(main())
