"""Link preview service: fetch a page safely and extract its preview metadata."""
