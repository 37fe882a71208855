"""relocal: run Claude Code on a remote host against a local project, kept in sync with rsync"""
__version__ = "0.1.0"
