"""
Course Watcher - Automated course catalog monitoring pipeline.

This package provides functionality to:
- Crawl the formacionagraria.tenerife.es course catalog politely
- Extract course details from each course page
- Compare courses with the ones already stored to detect new entries
- Notify via Telegram when new courses are found
"""

__version__ = "1.0.0"
