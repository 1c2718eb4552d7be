"""
Catalog scrape orchestration engine.
"""
