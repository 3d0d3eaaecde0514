"""Contrast bench test suite

- Unit tests for the raster model, codec and enhancement backends
- Runner and verifier behavior on files written to a temp directory
- End-to-end bench and CLI runs, including exit codes
"""
