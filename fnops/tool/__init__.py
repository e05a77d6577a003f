"""Command line tool for deploying functions and installing components."""
