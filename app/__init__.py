"""HTTP transport for the Prometheus metrics exporter"""
