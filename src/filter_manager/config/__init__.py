"""Configuration and logging setup for filter-manager.

Brief:
    Groups the YAML config loader and the logging initializer under the
    ``filter_manager.config`` namespace.

Inputs:
    - None.

Outputs:
    - Makes ``filter_manager.config.config_parser`` and
      ``filter_manager.config.logging_config`` importable.
"""
