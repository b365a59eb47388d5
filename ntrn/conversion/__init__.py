"""Conversion of a Next.js project into an Expo app."""
