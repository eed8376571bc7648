"""Command-line interface for tally (``tally --help``)."""
