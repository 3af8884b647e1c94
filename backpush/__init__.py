"""backpush: one-way local → SFTP sync that backs up what it replaces"""
__version__ = "1.0.0"
