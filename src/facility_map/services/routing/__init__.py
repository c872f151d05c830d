"""Route planning: endpoints, routing engine adapter and coordinator."""
