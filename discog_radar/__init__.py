"""Azure Functions app proxying the Discogs public API for the catalog explorer."""
