"""Services Layer: the EventDesk facade that sequences core calls, locking and persistence."""
