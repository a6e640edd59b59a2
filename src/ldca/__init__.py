"""Leveraged dollar-cost-averaging (L-DCA) historical trade simulation."""
