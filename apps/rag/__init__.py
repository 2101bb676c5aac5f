"""
RAG (Retrieval Augmented Generation) app.

Provides:
- Query expansion via the LLM
- Embedding similarity retrieval over the in-memory fact store
- Cited answer composition
- Citation existence verification
"""
