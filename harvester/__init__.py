"""harvester — search-engine link harvesting, scraping and volume compilation."""

__version__ = "0.1.0"
