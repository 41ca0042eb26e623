"""Command-line tools for Asash AI.

- ``python -m asash.cli`` (``asash.cli.ingest``) -- add, list and delete
  knowledge-base documents and ask questions from a terminal.

All CLI modules use argparse and construct their own services rather
than going through the web app's DI container, since they run as
one-shot scripts.
"""
