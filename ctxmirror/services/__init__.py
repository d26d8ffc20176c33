"""
Services: filesystem access, environment, configuration and export orchestration.
"""
