"""memweave command line interface."""
