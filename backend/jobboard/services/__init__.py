"""Domain services: auth collaborators, eligibility, submission, persistence."""
