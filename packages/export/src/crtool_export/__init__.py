"""Report exporters for review histories."""
