"""
Integracion one-way con el CRM remoto (organizaciones, personas, reuniones).

Piezas:
- session: access token vigente y su expiracion, refresh via refresh token.
- client: cliente HTTP async (httpx) que clasifica errores (429/401/transitorios).
- retry: ejecutor con presupuesto acotado de intentos y backoff exponencial.
- pagination: cursor por offset sobre una ventana de tiempo, con rebase al
  acercarse al techo de 10.000 del API de busqueda.
"""
