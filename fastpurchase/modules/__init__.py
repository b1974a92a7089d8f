"""Feature modules: accounts, products, orders, health."""
