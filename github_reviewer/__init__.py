"""
GitHub Reviewer

Receives GitHub pull request webhooks, reviews the changed files with a
pluggable AI provider (Claude, ChatGPT or Gemini) and posts the review back.
"""

__version__ = "1.0.0"
