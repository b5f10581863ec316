"""ESS Design document repository backend."""
