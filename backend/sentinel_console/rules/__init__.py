"""Rule template, pure merge functions and the per-hotel rule store."""
