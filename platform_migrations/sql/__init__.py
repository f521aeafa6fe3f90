"""Relational schema and the document-store to SQL projection."""
