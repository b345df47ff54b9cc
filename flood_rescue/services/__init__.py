"""
Services layer - business logic for the incident lifecycle.

Services receive their store handles by constructor; nothing here reaches for
a process-wide client.
"""
