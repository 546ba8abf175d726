"""Command-line interface (``bbactivity``)."""
