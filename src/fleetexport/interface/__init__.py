"""Interface layer: command-line entry point and input file readers."""
