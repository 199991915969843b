"""core/ -- Kernel: settings and the error taxonomy. Imports nothing from the other packages."""
