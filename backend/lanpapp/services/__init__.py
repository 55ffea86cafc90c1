"""Services — imperative shell: load rows, call pure core rules, write, announce."""
