from __future__ import annotations

from portrait_enhancer.cli import main

if __name__ == "__main__":  # pragma: no cover - exercised via integration test
    raise SystemExit(main())
