"""
Ingestion: content extraction, chunking, and embedding.

Turns raw investor sources (web pages, PDFs) into plain text, splits the
text into typed evidence chunks, and embeds them.
"""
