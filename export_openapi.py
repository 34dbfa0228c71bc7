import json
from pathlib import Path

from ipwatch.main import app  # FastAPI app


def main() -> None:
    """Write the OpenAPI schema of the status surface to openapi/ipwatch.openapi.json."""
    schema = app.openapi()
    out_path = Path("openapi") / "ipwatch.openapi.json"
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(schema, indent=2))
    print(f"Wrote {out_path}")  # noqa: T201


if __name__ == "__main__":
    main()
