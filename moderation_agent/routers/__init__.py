"""
API Routers for the Content Moderation Agent.

Each router handles a specific domain:
- content: Content submission, lookup, send-to-review, stuck reset
- reviews: Moderator gold labels
- settings: Thresholds and retraining switches
- wordlist: Blocked word management
- model: Classifier status, reload, save, retrain
- websocket: Real-time moderation results
"""

from . import content, reviews, settings, wordlist, model, websocket

__all__ = ["content", "reviews", "settings", "wordlist", "model", "websocket"]
