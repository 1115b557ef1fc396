# config package: authoritative source for all client defaults.
#
# Sub-modules:
#   api_config.py    : endpoints, API versions, header names, metadata levels
#   client_params.py : retry budget, backoff schedule, timeouts, transient phrases
#
# Per-client overrides go through graph_client.executor.ClientConfig.
