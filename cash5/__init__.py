"""
NJ Cash 5 draw archive and analysis engine.

Modules:
- draw: draw record model
- store: JSON archive load / merge / persist
- scraper: incremental, retrying draw fetcher
- analysis: frequency and chi-squared uniformity analysis
- predictor: daily recommendations
- odds: jackpot odds table
- models: distance, annealing and repeat-probability models
"""
