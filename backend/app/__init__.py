"""Live service: feed client, broadcast hub, coordinator and HTTP surface."""
