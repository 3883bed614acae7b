from __future__ import annotations

from tabular_import.cli.commands import main

if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
