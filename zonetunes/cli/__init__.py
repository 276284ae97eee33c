"""
Command-Line Interface Layer.
"""
