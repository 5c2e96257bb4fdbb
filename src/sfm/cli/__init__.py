"""
Command line interface for sfm.
"""
