#!/usr/bin/env python3
"""Local test for recipe extraction."""

import json
import sys
from pathlib import Path

from config import Config, load_config
from extractor import RecipeNotFoundError, extract_recipe
from gateway import GatewayRequest, RecipeGateway
from sanitizer import sanitize_recipe


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print("Usage:")
        print("  python check_url.py <url>")
        print("  python check_url.py <saved_page.html>")
        print()
        print("Examples:")
        print("  python check_url.py https://www.recipetineats.com/chicken-chasseur/")
        print("  python check_url.py page.html")
        return 1

    arg = args[0]

    # Check if it's a URL
    if arg.startswith("http://") or arg.startswith("https://"):
        try:
            config = load_config()
        except FileNotFoundError:
            config = Config()

        print(f"Processing URL: {arg}", file=sys.stderr)
        gateway = RecipeGateway(config)
        try:
            response = gateway.handle(GatewayRequest(method="POST", body={"url": arg}))
        finally:
            gateway.close()

        print(json.dumps(response.body, indent=2, ensure_ascii=False))
        return 0 if response.status == 200 else 1

    file_path = Path(arg)
    if not file_path.exists():
        print(f"File not found: {file_path}", file=sys.stderr)
        return 1

    print(f"Processing: {file_path}", file=sys.stderr)
    try:
        recipe = extract_recipe(file_path.read_text(encoding="utf-8", errors="ignore"))
    except RecipeNotFoundError as e:
        print(f"No recipe found: {e}", file=sys.stderr)
        return 1

    print(json.dumps(sanitize_recipe(recipe).to_dict(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
