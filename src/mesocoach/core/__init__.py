"""Session-generation engine: models, periodization, selection and progression."""
