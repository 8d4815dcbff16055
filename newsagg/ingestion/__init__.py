"""
NewsAgg Ingestion Module
========================

Source ingestion components.

This module handles:
- Fetch orchestration and run log bookkeeping
- Routing sources to the RSS or HTML processor
- Article normalization and deduplication
"""
