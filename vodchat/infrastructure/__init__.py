"""Infrastructure components: logging and observability."""
