# DesignDesk HTTP API
