"""
Data operations: dataset loading, order-imposing transforms applied before
rendering, and the plotting call log used to capture imperative scripts.
"""
