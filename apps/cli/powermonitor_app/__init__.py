"""PowerMonitor command-line host."""
