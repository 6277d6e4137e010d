"""
Federated univariate linear regression simulator.

This package simulates clients (each backed by its own text dataset) that
train a single-feature linear model locally and hand their parameters to a
server, which averages them and benchmarks the result against a
centralized model trained on the pooled data.

Key modules:
- fedlinreg.data: loading, splitting and normalizing per-client data
- fedlinreg.models: the linear model and its parameter record
- fedlinreg.fl: client/server logic, aggregation and parameter exchange
- fedlinreg.utils: logging, config, metrics, serialization, exceptions
- fedlinreg.experiments: experiment runner
"""
