"""Remote store and AI summarization clients."""
