"""cloudspend - multi-cloud cost analytics, anomaly detection and alerting"""

__version__ = "0.1.0"
