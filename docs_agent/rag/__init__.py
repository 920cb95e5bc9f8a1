"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- Document chunking with overlap
- Embedding generation
- FAISS vector storage
- Ingestion of the documents directory
- Semantic retrieval
"""
