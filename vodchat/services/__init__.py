"""Services: the replay engine and its chat log collaborators."""
