"""
Gallery AI-Tagger

Background AI tagging for a self-hosted photo gallery: photos are queued
after upload, sent to an OpenAI-compatible vision model together with the
owner's tag vocabulary, and the returned tags are reconciled into the
gallery database as AI tags and pending suggestions.
"""

__version__ = "1.0.0"
__author__ = "Gallery AI-Tagger Team"
