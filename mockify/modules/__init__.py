# Modules package
