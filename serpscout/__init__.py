"""serp-scout: competitor SERP scraping with lightweight SEO signals."""

__version__ = "0.1.0"
