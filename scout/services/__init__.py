"""Services layer for SourceScout.

Services implement business logic over the in-memory stores.
Organized by feature:
- discovery: Candidate intake, relevance scoring and admission
- stores: Patterns, thresholds, scoring models and jobs
- enrichment: Worker pool that analyzes admitted sources
"""
