"""Second Brain REST API package.

Sub-modules expose FastAPI routers for each domain:
- search: hybrid search and title search
- content: list, fetch and delete saved items
- notes, links, documents: item creation
"""
