"""Back office API: stock, customers and invoices."""
