"""
Implementation of `live-state` CLI.
"""
