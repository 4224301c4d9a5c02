# Word-addressed memory with device register routing
