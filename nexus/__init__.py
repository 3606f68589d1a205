"""Client-side guest access policy backed by the Nexus controller's connect params."""
