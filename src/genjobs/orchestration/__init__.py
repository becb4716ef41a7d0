"""Building blocks of a single generation job: submit, poll, extract, materialize."""
