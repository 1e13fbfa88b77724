"""History of port changes: storage, queries, retention, stats, summaries, export and tags."""