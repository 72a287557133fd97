"""
Corpus Miner - git history mining with global content deduplication.

Clones repositories from a seed list, walks every branch and every file
revision, and stores each distinct blob exactly once in a sharded,
content-addressed filesystem store.
"""

__version__ = "1.2.0"
