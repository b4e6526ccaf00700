"""``python -m mft`` runs one crawl pass (or any ``mft`` subcommand)."""
from __future__ import annotations

from mft.cli import main

raise SystemExit(main())
