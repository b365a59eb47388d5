"""ntrn: Next.js to React Native (Expo) conversion toolkit."""

__version__ = "0.1.0"
