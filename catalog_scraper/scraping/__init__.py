"""
Scrape orchestration engine: fetching, discovery, extraction and run tracking.
"""
