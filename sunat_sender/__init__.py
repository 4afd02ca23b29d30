"""
Orquestación del envío de comprobantes: validación, transporte y estado
"""
