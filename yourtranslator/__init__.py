"""YourTranslator: LINE writing assistant for Japanese learners of English."""
