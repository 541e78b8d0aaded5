"""Content model: types, bindings, items, dependencies and the store."""
