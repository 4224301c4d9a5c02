# Memory-mapped devices
