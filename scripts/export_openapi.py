#!/usr/bin/env python
"""
Export OpenAPI schema to JSON file
Builds the app against an in-memory database so no environment is needed
"""
import json
import sys
from pathlib import Path

from fyw_pay.app import create_app
from fyw_pay.config import Config

project_root = Path(__file__).parent.parent


def export_openapi(output_path: Path = project_root / "docs" / "openapi.json") -> dict:
    config = Config(
        ENV="test",
        DATABASE_URL="sqlite://",
        JWT_SECRET="openapi-export-placeholder-secret-000000",
        ADMIN_EMAIL="admin@example.com",
        ADMIN_PASSWORD="placeholder",
        PAYSTACK_SECRET_KEY="sk_placeholder",
        LOG_LEVEL="WARNING",
    )
    app = create_app(config, invite_generator=object())
    openapi_schema = app.openapi()

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(openapi_schema, f, indent=2, ensure_ascii=False)

    print(f"✓ OpenAPI schema exported to {output_path}")
    print(f"  API title: {openapi_schema.get('info', {}).get('title', 'unknown')}")
    print(f"  API version: {openapi_schema.get('info', {}).get('version', 'unknown')}")
    print(f"  Endpoints: {len(openapi_schema.get('paths', {}))}")
    return openapi_schema


if __name__ == "__main__":
    try:
        export_openapi()
    except Exception as e:
        print(f"✗ Error exporting OpenAPI schema: {e}", file=sys.stderr)
        sys.exit(1)
