"""Analysis pipeline: walk, extract, classify, resolve, aggregate."""
