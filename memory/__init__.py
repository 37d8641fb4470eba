"""Local document and blob persistence."""
