"""Turn engine, state model and the rules that govern them."""
