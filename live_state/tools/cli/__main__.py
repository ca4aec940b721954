"""
Entry point of `live-state` CLI when run as a module.
"""

from .main import run

run()
