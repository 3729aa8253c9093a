"""
MPG Global Ranking Generator

A Playwright-based scraper that logs into MPG, reads the ranking table of each
regional league and publishes a combined leaderboard as a static HTML page.
"""

__version__ = "1.0.0"
__author__ = "MPG Ranking Team"
