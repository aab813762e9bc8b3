"""Integration tests for element-scanner.

Integration tests parse real files from the file system through the
default expat reader and chain the scanner with standard SAX handlers.

Run with: poetry run pytest tests/integration/ -v -s
Skip: pytest -m "not integration"
"""
