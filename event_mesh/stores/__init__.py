"""
Event and narrative storage backends.

- base: EventStore / NarrativeStore interfaces and EventFilter
- durable: SQL-backed variants
- memory: process-wide in-memory variants and the fallback registry
- factory: configuration-time backend selection
"""
