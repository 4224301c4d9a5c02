# Register file, ALU and instruction decoder
