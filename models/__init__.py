"""LLM provider access for Questex."""
