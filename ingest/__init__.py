"""
Ingest package: GitHub and Azure DevOps clients plus bulk candidate selection.
"""
