"""EDS backend — Connector, token-aware retry and query translation for the EDS API.

Entry points:
  - ``edsbackend.backend.eds.factory.EdsBackendFactory``: wires a backend from settings
  - ``edsbackend.backend.eds.backend.EdsBackend``: search / retrieve / get_info
"""
