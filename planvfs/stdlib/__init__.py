"""Built-in tools and helpers shipped with planvfs."""
