"""
GitLab AI Reviewer.

Reviews GitLab merge requests with a large language model and posts a
single summary note per merge request.
"""

__version__ = "1.0.0"
