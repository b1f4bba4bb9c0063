"""createkit -- scaffold new JavaScript/TypeScript projects and add tooling to existing ones."""

__version__ = "0.1.0"
