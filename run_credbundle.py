# run_credbundle.py
from __future__ import annotations

import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

from credbundle import CancellationToken, execute
from credbundle.config import load_config
from credbundle.exceptions import BundleError, innermost_message
from credbundle.utils.logging_cfg import configure_logging
from credbundle.utils.run_summary import Summary

USAGE = "usage: run_credbundle.py <destination> [bundle-url] [config.yaml]"


def main(argv: Optional[List[str]] = None) -> int:
    """Exit code 0 when unpacked, 1 when cancelled, 2 on failure."""
    args = sys.argv[1:] if argv is None else argv
    if not args or args[0] in ("-h", "--help"):
        print(USAGE)
        return 0 if args else 2

    destination = Path(args[0])
    url = args[1] if len(args) > 1 and args[1] else None
    config_path = Path(args[2]) if len(args) > 2 else None

    # 1) settings + logs (summary file + debug file + console)
    try:
        config = load_config(config_path)
    except BundleError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 2
    configure_logging(config.logging)
    lg = logging.getLogger("summary")
    summary = Summary()

    # 2) Ctrl+C stops the transfer at the next chunk
    token = CancellationToken()
    signal.signal(signal.SIGINT, lambda *_: token.cancel("Interrupted by user"))

    # 3) run
    try:
        ok = execute(
            destination,
            url,
            log_info=lg.info,
            log_error=lg.error,
            cancellation=token,
            config=config,
            summary=summary,
        )
    except Exception as e:
        summary.log_error("run", innermost_message(e))
        summary.dump()
        return 2

    summary.dump()
    return 0 if ok else 1


# ---------------------------------------------------------------------------
# CLI entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    raise SystemExit(main())
