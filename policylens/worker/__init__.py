# Pipeline worker internals: scheduler (path_a), rule engine path (path_b),
# coordinator, store wrappers (db) and the process_document entry point (main).
