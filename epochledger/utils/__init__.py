# Byte encoding helpers
