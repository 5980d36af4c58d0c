"""Hub services: registry, queues, dispatcher and the hub facade."""
