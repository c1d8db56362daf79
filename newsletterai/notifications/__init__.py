"""In-app notifications written as a side effect of generation and distribution."""
