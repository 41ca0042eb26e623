"""Allow ``python -m asash.cli`` execution."""

from asash.cli.ingest import main

main()
