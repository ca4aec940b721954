"""
Tools built on the mirroring core: configuration and CLI.
"""
