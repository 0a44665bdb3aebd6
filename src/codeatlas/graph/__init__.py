"""Graph projections over an analysis snapshot."""
