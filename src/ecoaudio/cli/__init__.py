"""Command line interface for ecoaudio."""
